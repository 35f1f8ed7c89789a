"""Personal finance planner backend.

Accounts, hierarchical categories, transactions and planned payments, with the
account balance ledger and planned-payment scheduling maintained in the write
path of every mutation.
"""

__version__ = "0.1.0"
