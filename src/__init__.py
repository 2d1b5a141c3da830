"""
Kickstarter Campaign Analytics
"""
