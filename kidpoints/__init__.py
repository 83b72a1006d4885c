"""KidPoints: a household points board for two children."""
