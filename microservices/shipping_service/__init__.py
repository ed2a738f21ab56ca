"""
Shipping Microservice

Responsibilities:
- Order bundling (create, list, suggest, status, unbundle)
- Seller shipment metrics
- Rate estimates and label purchase, single and bundled
"""
