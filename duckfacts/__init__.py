"""
Duck facts service.

This package provides a FastAPI application that generates duck facts with a
chat-completion model, translates them to French, caches them in a SQL store
and broadcasts them to SMS subscribers through email-to-SMS gateways.
"""
