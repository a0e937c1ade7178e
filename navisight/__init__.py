"""
NAVISIGHT - CCTV camera management and HLS stream proxy
"""
__version__ = "1.0.0"
