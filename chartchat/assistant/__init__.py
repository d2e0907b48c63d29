"""
Chart Assistant Module
Prompt building, model access and reply interpretation for chart chat
"""
