"""Configuration, exceptions, logging and cancellation"""
