"""MongoDB server installation, configuration and replica set bootstrap."""
