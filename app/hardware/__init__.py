"""
Hardware transports.
"""
