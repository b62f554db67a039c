"""Runtime core: command queue, run manager, transport, and session runtime."""
