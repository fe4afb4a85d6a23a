"""Core of pluginhub: error types and the PluginHub facade."""
