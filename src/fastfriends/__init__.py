"""Fast Friends: Slack guess-the-teammate game scheduling and dispatch."""
