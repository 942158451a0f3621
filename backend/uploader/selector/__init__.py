"""Image selector module.

Owns the client-side state of the upload widget: the pending image list,
the selection set, per-image upload progress, the crop workspace and the
error banner. Every transition produces a new immutable snapshot.
"""
