"""Local development mode for lattice applications.

Modules:
    logger: logging setup and the shared exception hierarchy
    manifest: wadm.yaml loading
    claims: actor/provider claims models
    registry: tri-indexed component registry
    scanner: manifest scan that fills the registry
    wash: external platform operations (wash CLI, make)
    orchestrator: the dev session state machine
    shutdown: cooperative shutdown on SIGINT/SIGTERM
    dev_core: change watching and rebuild dispatch
"""
