"""Contact Domain - general contact messages forwarded to the operator"""
