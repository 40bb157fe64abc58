"""
Command implementations for the Marble invoker.

Each module corresponds to a top-level CLI command:
- call:    Send a change (mutating) call, signed by the configured account
- view:    Run a read-only view call
- run:     Execute the call described by a call file
- account: Show an account's on-chain state
- keygen:  Generate an ed25519 key and save it to ~/.marble/.env
- tx:      Look up the outcome of a submitted transaction
"""
