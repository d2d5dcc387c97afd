"""Bookings Domain - public booking requests and admin booking management"""
