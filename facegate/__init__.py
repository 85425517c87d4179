"""
facegate: real-time face verification against an employee backend.

Camera frames are triaged by `analysis`, the best one in a short window is
picked by `collection`, embedded by `recognition` and checked by `network`.
`verification` ties the steps together behind a single-admission gate.
"""

__all__ = [
    "analysis",
    "camera",
    "collection",
    "config",
    "detectors",
    "errors",
    "io_utils",
    "network",
    "recognition",
    "types",
    "verification",
]
