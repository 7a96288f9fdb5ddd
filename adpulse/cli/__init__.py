"""
AdPulse command line interface
"""
