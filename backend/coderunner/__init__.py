"""
Code Runner

Containerized multi-language code execution with streaming I/O.
"""
