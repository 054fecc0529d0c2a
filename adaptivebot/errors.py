class BotError(Exception):
    """Base trading bot error"""
    pass

class DataInsufficient(BotError):
    """Not enough candles or ticks for an analysis step"""
    pass

class TransportError(BotError):
    """Feed or order-placement failure"""
    pass

class ProtocolError(BotError):
    """Malformed or error-bearing message from the brokerage"""
    pass

class InvariantViolation(BotError):
    """Event that contradicts the contract lock state"""
    pass
