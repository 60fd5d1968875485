"""
Yet Another Libvirt Viewer: a terminal front-end for virsh.
"""
