"""
AdComposer CLI
"""
