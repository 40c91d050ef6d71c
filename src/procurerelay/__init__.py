"""
ProcureRelay - Procurement open-data relay.

Fetches bid notices, pre-notices and contracts from the upstream procurement
API (falling back to substitute data when it is unreachable) and forwards
each dataset to a configured outbound webhook.
"""

__version__ = "0.1.0"
__app_name__ = "procurerelay"
