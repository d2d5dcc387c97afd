"""Business domains of the booking API"""
