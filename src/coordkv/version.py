""" The coordkv release number, shared by the client and the daemon. """

version = '0.4.0'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
