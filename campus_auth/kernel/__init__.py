"""
Kernel - account models and the credential lifecycle.
"""
