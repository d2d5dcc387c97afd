"""Payments Domain - Stripe checkout, webhook and payment confirmation"""
