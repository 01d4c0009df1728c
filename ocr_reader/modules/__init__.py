"""
Recognition pipeline building blocks.
"""
