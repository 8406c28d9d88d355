"""Remote session transports"""
