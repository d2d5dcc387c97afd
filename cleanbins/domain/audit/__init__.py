"""Audit Domain - append-only trail of admin and booking mutations"""
