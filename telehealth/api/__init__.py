"""
HTTP and WebSocket routes.

- voice: Twilio webhooks (/voice, /handle-call, /process-recording) and the
  /stream media WebSocket.
- callback: /api/request-callback for the web client.
- dependencies: access to settings and provider clients stored on app.state.
"""
