"""Credit usage engine for the Debt Manager ledger"""
