"""Microsoft Graph drive API: addressing, requests, transports and resources."""
