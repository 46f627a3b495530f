"""
Core components: container executor and client channel plumbing.
"""
