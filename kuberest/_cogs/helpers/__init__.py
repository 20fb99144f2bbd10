"""
General-purpose helpers not related to the client itself
(neither to the requests nor to the polling protocol nor to the structs),
which are used to prepare and control the runtime environment.

These are things that should better be in the standard library
or in the dependencies.

As a rule of thumb, helpers MUST be abstracted from the client
to such an extent that they could be extracted as reusable libraries.
"""
