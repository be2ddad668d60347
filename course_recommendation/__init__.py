# course_recommendation/__init__.py

"""
Course recommendation and search ranking engine.

- rule_based: feature extractors, profile folding, candidate retrieval, scoring
- service: profile fan-out, cache, fallback, facets, recommendation/search services
- data: catalog stores (MongoDB, in-memory fixture) and cache stores (Redis, in-memory)
- interface: process-wide service singletons used by the HTTP server
"""
