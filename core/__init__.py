"""core/ -- Pure access-control, spatial and redaction logic plus configuration.

Layer rule: core/ is the kernel. It imports nothing from auth/, resources/,
or api/.
"""
