"""
Domain layer containing the client-side room logic.

Submodules:
- live.room: room session controller, step machine and data channel codec.
"""
