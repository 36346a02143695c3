"""
BizSuite backend
"""
