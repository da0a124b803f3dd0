"""Row serving components.

This package encodes fetched images and exposes them as row fields,
streaming the image column to the writer one image at a time.
"""
