"""
Shared helpers: flat-earth projection and angle math (geo), data model (types),
JSON logging (logging_setup) and small utilities (utils).
"""
