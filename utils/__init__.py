"""Shared helpers: API access, caching, metrics, map rendering"""
