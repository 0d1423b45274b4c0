"""Report output"""
