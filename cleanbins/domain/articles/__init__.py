"""Articles Domain - blog articles stored as JSON files"""
