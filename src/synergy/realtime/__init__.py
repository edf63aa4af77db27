"""Real-time infrastructure — per-project rooms over WebSockets.

Learn: Events flow one way, from HTTP handlers to browsers:
1. Route handler commits a mutation → EventPublisher builds a typed event
2. RoomBroadcaster looks up the project's room in the ConnectionRegistry
3. Each member socket's writer task pushes the event to its client

The registry is in-process state owned by a RealtimeHub on app.state.
Delivery is at-most-once: clients that miss events re-fetch over HTTP.
"""
