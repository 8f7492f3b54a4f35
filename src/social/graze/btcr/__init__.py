"""
did:btcr Driver

This module implements a resolver for the did:btcr DID method. A did:btcr identifier names a Bitcoin transaction
by its position in the chain (a txref). The DID document is derived from the transaction that currently holds the
identifier's BTCR output, found by following the chain of transactions that spent it, together with an optional
continuation document the transaction points to.

Key Components:
- resolve: The resolution algorithm (txref decoding, tip following, continuation retrieval, document assembly)
- bitcoin: Blockchain lookup backends (BlockCypher, Esplora)
- app: Web application exposing the resolver as a Universal Resolver driver
- model: In-process service state

Architecture Overview:
1. A request names a did:btcr identifier
2. The txref is decoded into a chain, block height and transaction position
3. The configured backend finds the transaction and each transaction that spent its BTCR output in turn
4. The last transaction's continuation document is fetched and merged with the key recovered from the chain
5. The DID document is returned with metadata describing every transaction visited

Resolution is read-only and stateless: nothing is written to the chain and nothing is cached between requests.
"""
