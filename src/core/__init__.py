"""Core domain package for coffeechat.

Core contains ranking, negotiation, and room lifecycle logic without any
Discord or storage-specific code, keeping the business logic portable.
"""
