"""
The VIEW layer renders point clouds with PyVista (optionally inside Qt).
"""
