"""Deal action recommendation engine.

Provides the deal snapshot schemas, the deterministic Next-Best-Action rule
evaluator (next_action), the action context builder (context), category
classification and display lookups (categories), stage configuration
(stages), conversation context aggregation (conversations), and the
heuristic AI suggestion generators and ranker (suggestions).
"""
