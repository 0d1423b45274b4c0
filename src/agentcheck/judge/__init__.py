"""LLM-as-judge evaluation of transcripts"""
