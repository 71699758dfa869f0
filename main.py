"""
Entrada de la aplicación web.
Delega en app.py, donde vive la interfaz de Streamlit.

Se ejecuta con:
    streamlit run main.py
"""

from app import main


if __name__ == "__main__":
    main()
