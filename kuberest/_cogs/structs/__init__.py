"""
All the structures coming from/to the API server, and their encodings.

Structs do not perform any network activity on their own. They are used
by the clients to interpret the payloads and to build the requests.
"""
