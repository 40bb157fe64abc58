"""
Chain - On-chain interaction layer for Marble.

Provides the NEAR JSON-RPC client and FunctionCall transaction utilities.

Uses httpx for transport and py-near-primitives for transaction encoding
and signing, instead of a full NEAR SDK.
"""
