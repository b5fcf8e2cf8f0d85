from .app import create_app

app = create_app()

if __name__ == '__main__':
    print(" Starting Student Dropout Risk Dashboard...")
    # Disable debug and reloader for production
    app.run(debug=False, host='0.0.0.0', port=5000, use_reloader=False)
