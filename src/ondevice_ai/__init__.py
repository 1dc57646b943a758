# ondevice_ai: memory-grounded agent core (vector memory, RAG, ReAct tool loop)

__version__ = "0.1.0"
