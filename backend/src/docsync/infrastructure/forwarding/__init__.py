from .smtp_forwarder import SmtpForwardingGateway, SmtpRelayConfig

__all__ = ["SmtpForwardingGateway", "SmtpRelayConfig"]
