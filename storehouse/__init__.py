"""
Storehouse order workflow service
"""
