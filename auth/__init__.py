"""auth/ -- Bearer-token session authentication.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It never imports from main.py; the CLI imports from auth/, not the other way around.
"""
