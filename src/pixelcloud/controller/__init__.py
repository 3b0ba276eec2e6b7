"""
The CONTROLLER layer moves work between the model and the views
(background sampling, result ordering).
"""
