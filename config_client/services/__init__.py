"""Client services"""
