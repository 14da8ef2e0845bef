"""Core module - Servicio de monitoreo de riego.

Estructura:
- transport/   → Enlace MQTT con el controlador de campo
- domain/      → Modelos, eventos y política vigente
- validation/  → Validación de telemetría
- pipeline/    → Ingesta de lecturas y generador de muestras
- control/     → Comandos hacia el controlador
- fanout/      → Push a observadores en vivo
- history/     → Consultas por ventana temporal
- monitoring/  → Stats y estado del sistema
"""
