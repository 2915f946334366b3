"""
GSTShaderGPU/utils/__init__.py
"""
