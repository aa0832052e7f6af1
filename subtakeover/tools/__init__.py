# subtakeover/tools/__init__.py
"""
Network lookup clients used by the scanner (WHOIS).
"""
