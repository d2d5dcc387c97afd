"""Catalog Domain - services, variants and served cities"""
