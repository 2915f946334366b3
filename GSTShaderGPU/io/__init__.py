"""
GSTShaderGPU/io/__init__.py
"""
