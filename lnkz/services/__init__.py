"""
Link services.

Shortening (validation, abuse gates, code assignment), redirect resolution
with click counting, and link statistics. Endpoints construct these per
request around the LinkStore they are given.
"""
