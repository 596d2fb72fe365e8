"""
Web front end for Rantboard: access gate, response shaping and routes.
"""
