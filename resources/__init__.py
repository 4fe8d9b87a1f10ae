"""resources/ -- Resource persistence and the service that orchestrates CRUD.

Layer rule: resources/ may import from core/ and auth/, never from api/.
"""
