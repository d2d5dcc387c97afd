"""Availability Domain - passage precedence and daily capacity resolution"""
