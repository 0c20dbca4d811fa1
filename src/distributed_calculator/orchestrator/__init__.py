"""Coordinator core: expression intake, task queue and result reconciliation.

Every expression yields at most one task. A task is tracked in the in-flight
correlation index before it becomes visible in the FIFO queue, and it leaves
the index exactly once, when its result is accepted. Workers only ever pull
tasks and push results; they never coordinate with each other.
"""
