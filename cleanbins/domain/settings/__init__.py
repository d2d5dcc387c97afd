"""Settings Domain - runtime business configuration stored in the config table"""
