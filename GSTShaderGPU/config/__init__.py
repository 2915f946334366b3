"""
GSTShaderGPU/config/__init__.py
"""
