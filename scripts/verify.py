"""
Excel Verification Script

Verifies data integrity of the paid-bill export file.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from restaurant_pos.services.excel_manager import ExcelManager


def verify_excel() -> bool:
    """Verify the bill workbook after a service day."""
    excel_file = ExcelManager.bills_file()

    print("=" * 60)
    print("EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {excel_file}")
    print("=" * 60)

    if not excel_file.exists():
        print("\nExcel file not found!")
        print("   Check out at least one bill with export enabled first.")
        return False

    try:
        df = pd.read_excel(excel_file, engine='openpyxl')
        print("\nFile loaded successfully!")
    except Exception as e:
        print(f"\nCould not read Excel file: {e}")
        return False

    print("\nSTATISTICS:")
    print(f"   Total Bills: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    required = ['bill_id', 'table_id', 'total_amount', 'final_price']
    missing = [col for col in required if col not in df.columns]

    if missing:
        print(f"\nMissing Columns: {missing}")
    else:
        print("\nAll required columns present")

    if 'bill_id' in df.columns:
        duplicates = df['bill_id'].duplicated().sum()
        if duplicates > 0:
            print(f"\n{duplicates} duplicate bill IDs found!")
        else:
            print("No duplicate bill IDs")

    if {'total_amount', 'final_price', 'discount'}.issubset(df.columns):
        expected = df['total_amount'] * (1 - df['discount'] / 100.0)
        mismatched = ((expected - df['final_price']).abs() > 0.01).sum()
        if mismatched:
            print(f"\n{mismatched} bill(s) with a final price that does not match the discount!")
        else:
            print("Final prices match discounts")

    if {'total_amount', 'final_price'}.issubset(df.columns):
        print("\nREVENUE:")
        print(f"   Gross: {df['total_amount'].sum():.2f}")
        print(f"   Net: {df['final_price'].sum():.2f}")
        print(f"   Average bill: {df['final_price'].mean():.2f}")

    print("\nRECENT BILLS:")
    print("-" * 60)
    if len(df) > 0:
        cols = ['bill_id', 'table_name', 'final_price', 'date_check_out']
        cols = [c for c in cols if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE")
    print("=" * 60)

    return True


if __name__ == "__main__":
    sys.exit(0 if verify_excel() else 1)
