"""Test execution: case runner, suite executor, multi-target coordinator"""
