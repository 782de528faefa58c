"""
Locks en proceso.
"""
