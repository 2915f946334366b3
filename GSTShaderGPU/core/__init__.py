"""
GSTShaderGPU/core/__init__.py
"""
