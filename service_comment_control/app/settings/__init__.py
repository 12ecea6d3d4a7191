"""
Settings package.

Holds the persisted rule document (in memory or in Redis) and the manager
that overlays it on the default rules.
"""
