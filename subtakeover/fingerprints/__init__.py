# subtakeover/fingerprints/__init__.py
"""
Fingerprint database: upstream sources, on-disk cache and the correction
table applied on load.
"""
