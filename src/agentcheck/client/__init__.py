"""HTTP clients: Direct Line transport and judge LLM"""
