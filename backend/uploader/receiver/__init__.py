"""Upload receiver module.

A single endpoint, ``POST /api/upload``, that accepts one multipart field
named ``image`` and writes it to the local upload directory under a
generated name. Nothing about the stored file is returned to the caller.
"""
