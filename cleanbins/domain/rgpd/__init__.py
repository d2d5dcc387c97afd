"""RGPD Domain - personal data access, export and erasure"""
