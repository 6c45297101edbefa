"""
Pure gamification rules. Nothing in this package touches the database.
"""
