"""
Call-flow decision engine and instruction document builders.
"""
