"""Worker agents that pull tasks from the coordinator over HTTP."""
