"""
drone-pilot server: REST API and process entry point
"""
