"""
foodworker - job worker for the food-production workflows.

Leases jobs of each registered type from the workflow orchestrator, runs
the matching handler and reports the outcome back.

- foodworker.execution: registry, worker loops, dispatcher, gateway
- foodworker.handlers: the food-production job handlers
- foodworker.stock / foodworker.documents: collaborators used by handlers
"""

__version__ = "0.1.0"
