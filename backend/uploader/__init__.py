"""Image uploader backend.

Modules:
    - receiver: ``POST /api/upload`` endpoint that stores one image per request
    - selector: per-session image selection, upload orchestration and cropping
"""
