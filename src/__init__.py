"""
Swapt Analytics Platform
"""
