"""Grant tracker backend: pipeline store, reminder scheduling, dispatch and ICS feed."""
