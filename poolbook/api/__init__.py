"""HTTP adapter exposing the reservation engine"""
