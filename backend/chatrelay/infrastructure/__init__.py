"""
Infrastructure Layer - adapters behind the domain ports.
"""
