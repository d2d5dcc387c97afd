"""Admin Domain - admin accounts, authentication and dashboard statistics"""
