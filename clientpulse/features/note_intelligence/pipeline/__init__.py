"""Pure pipeline stages: prompting, extraction, action item resolution and health scoring."""
