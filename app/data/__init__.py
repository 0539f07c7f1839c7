"""
TDMS Analytics - Static Reference Data
"""
