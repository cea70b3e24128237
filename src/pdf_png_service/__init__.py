"""
PDF-to-PNG Conversion Service package.

Listens for finalized PDF uploads in Cloud Storage, rasterizes them with
Ghostscript and publishes the PNG next to (or away from) the source. The
FastAPI push endpoint lives in `pdf_png_service.webapi`; the background
function entry point lives in `pdf_png_service.main`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
