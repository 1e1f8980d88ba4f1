"""TinyClaw — multi-agent collaboration core.

Agents grouped into teams talk to each other through bracket tags in
their responses, are invoked through interchangeable backend engines
(Claude, Codex, OpenCode), and carry a rolling observer memory forward
between invocations.
"""

__version__ = "0.1.0"
