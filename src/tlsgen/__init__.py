"""
tlsgen — development mTLS certificate generator.

Bootstraps a self-signed root CA once, then issues short-lived leaf
certificates carrying a SPIFFE workload identity, for sidecars and
init-containers in a development cluster.

Built on the Railway-Oriented Programming primitives in tlsgen.railway:
every stage returns a Result and the first failure ends the run.
"""

__version__ = "0.1.0"
