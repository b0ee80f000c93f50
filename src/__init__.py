"""Legal Aid Document OCR Service.

Stores uploaded legal documents and extracts their text in the background
with OpenCV preprocessing and Tesseract OCR, exposing processing status and
results through a REST API.
"""
