"""
Interop tests launching real subprocesses.

Tests verify:

- Process launch, liveness and termination through the subprocess launcher
- Launch failures carrying the output of the failed process
- Bootnode wiring and peer discovery across a started network
- Payload exchange between privacy managers
"""
