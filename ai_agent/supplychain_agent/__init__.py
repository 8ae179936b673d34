"""
Supply chain risk agent core: provenance-tagged context propagation,
multi-factor shipment risk scoring and mitigation recommendations.
"""

__version__ = "1.0.0"
