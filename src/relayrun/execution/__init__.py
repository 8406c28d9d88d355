"""Remote command execution and cleanup"""
