"""Pydantic input models and result records"""
