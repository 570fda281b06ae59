"""
openplan.services

Service layer (transaction + business rule owners).

Responsibilities:
- Own business rules on top of repositories.
- Decide commit boundaries for multi-step operations.
"""

# Package marker.
