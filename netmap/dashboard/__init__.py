"""HTTP/WebSocket surface and render conversion."""
