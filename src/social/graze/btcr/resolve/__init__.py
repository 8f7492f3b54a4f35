"""
did:btcr Resolution

This package resolves did:btcr identifiers to DID documents.

Key Components:
- txref.py: txref codec, turning the method-specific identifier into a block position and back
- tip.py: Spend chain traversal to the currently authoritative transaction
- continuation.py: Retrieval of the DID document continuation referenced on-chain
- document.py: DID document model and result assembly
- driver.py: BtcrResolver, tying the steps together
- __main__.py: CLI interface for resolution

The resolution flow follows these steps:
1. Decode the txref to a chain, block height and transaction position
2. Look up the transaction at that position
3. While the BTCR output of the current transaction has been spent, move to the spending transaction
4. Fetch the continuation document referenced by the last transaction, if any
5. Build the DID document from the on-chain key and the continuation, or report the identifier as deactivated
   when the output was spent and no continuation exists
"""
