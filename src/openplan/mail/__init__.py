"""
openplan.mail

Outgoing mail: delivery backend and message builders.
"""

# Package marker.
