"""
Constants used throughout the application.
"""

# Payment status colors (Tailwind palette, matches the cashier UI badges)
PAYMENT_STATUS_COLORS = {
    'pending': '#F59E0B',    # Amber-500 - awaiting payment
    'paid': '#10B981',       # Green-500 - settled
    'cancelled': '#6B7280',  # Gray-500 - stock returned
}

PAYMENT_STATUS_ICONS = {
    'pending': '⏳',
    'paid': '✅',
    'cancelled': '❌',
}

# Stock level badges used by medicine listings
STOCK_STATUS_OUT = 'OUT_OF_STOCK'
STOCK_STATUS_LOW = 'LOW_STOCK'
STOCK_STATUS_OK = 'IN_STOCK'

# Rows written by initialize_default_settings. Existing keys are never touched.
DEFAULT_SETTINGS = [
    {
        'key': 'clinic_name',
        'value': 'Rumah Khitan Super Modern Pak Nopi',
        'description': 'Nama klinik',
    },
    {
        'key': 'address',
        'value': '',
        'description': 'Alamat klinik',
    },
    {
        'key': 'phone',
        'value': '',
        'description': 'Nomor telepon klinik',
    },
    {
        'key': 'logo_url',
        'value': '',
        'description': 'URL logo klinik',
    },
    {
        'key': 'receipt_footer',
        'value': 'Terima kasih atas kepercayaan Anda',
        'description': 'Footer struk pembayaran',
    },
    {
        'key': 'low_stock_threshold_days',
        'value': '7',
        'description': 'Peringatan stok menipis (hari)',
    },
    {
        'key': 'expiry_warning_days',
        'value': '30',
        'description': 'Peringatan obat kedaluwarsa (hari)',
    },
]

DEFAULT_EXPIRY_WARNING_DAYS = 30
