"""Clients for remote data sources"""
