"""
Transaction intelligence engine.
"""
