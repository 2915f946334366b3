"""
GSTShaderGPU/cli/__init__.py
"""
