"""
Core configuration, security and infrastructure
"""
