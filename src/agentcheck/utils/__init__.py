"""Small shared helpers"""
