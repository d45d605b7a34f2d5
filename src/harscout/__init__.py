"""
HarScout - find the API call you described inside a HAR trace and reproduce it with curl.
"""

__version__ = '1.0.0'
