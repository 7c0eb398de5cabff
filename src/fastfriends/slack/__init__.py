"""Slack Web API integration for Fast Friends.

Everything the dispatch engine needs from Slack goes through the async
``SlackClient`` (httpx) and the ``RosterProvider`` collaborator. The engine
never touches the HTTP layer or the roster cache directly.
"""
