"""Quotes Domain - quote requests and their admin follow-up"""
