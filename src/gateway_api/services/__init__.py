"""Service layer shared by the HTTP routes and the realtime socket."""
