"""
Comment Control service package.

This package decides whether comments are open on a content item for a
given visitor. It provides:

- app.main: API surface for comment checks, rule settings and health.
- app.rules: Rule model, loader, defaults and the evaluation engine.
- app.settings: Settings stores and the manager that merges persisted
  rules over the defaults.

Guidelines:
- The engine is stateless; rules arrive with every evaluation.
- Rule order is precedence. Never sort or deduplicate rules.
- Malformed rules are rejected when loaded, never during evaluation.
"""
