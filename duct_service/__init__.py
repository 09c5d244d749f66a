"""Generador paramétrico de canaleta ranurada con tapa a presión."""

__version__ = "0.1.0"
