"""auth/ -- Authentication package for ResourceMap.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from api/ or resources/.
api/ imports from auth/, not the other way around.
"""
