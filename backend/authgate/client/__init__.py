"""Python client for the auth flow."""

from authgate.client.account import AccountMFA
from authgate.client.flow import AuthFlow, AuthFlowError, FlowExpiredError, Screen, SetupChallenge

__all__ = ["AccountMFA", "AuthFlow", "AuthFlowError", "FlowExpiredError", "Screen", "SetupChallenge"]
