"""Gateway and hosted-flow collaborators."""
from paypal_checkout.bridges.base import GatewayBridge, HostedFlowBridge, Subscription
from paypal_checkout.bridges.gateway import HttpGatewayBridge, InMemoryGatewayBridge
from paypal_checkout.bridges.hosted_flow import InMemoryHostedFlowBridge

__all__ = [
    "GatewayBridge",
    "HostedFlowBridge",
    "Subscription",
    "HttpGatewayBridge",
    "InMemoryGatewayBridge",
    "InMemoryHostedFlowBridge",
]
