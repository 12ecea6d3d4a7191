"""
Rules package.

Defines the rule model and the evaluation engine used by the Comment
Control service. Role rules open or close comments for a role or login
state; post rules close comments once content is too old or has too many
comments. The first rule that decides wins, and comments stay open when
none does.

Modules of interest:
- models: Data classes for content, actor, rules and results.
- loader: Validation of stored rule records into typed rules.
- defaults: Built-in rules, filters and the persisted-settings merge.
- engine: The ordered, short-circuiting evaluation.
"""
