"""
GSTShaderGPU/algorithms/__init__.py
"""
