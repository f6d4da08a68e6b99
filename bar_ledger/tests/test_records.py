import pytest
from datetime import date
from decimal import Decimal
from werkzeug.security import check_password_hash
from bar_ledger.config import Config
from bar_ledger.ds_exceptions import ValidationError
from bar_ledger.model.records import SaleRecord, hash_credential, new_purchase, new_user
from conftest import make_product


class TestSaleRecord:
    """Test cases for the sale total rule"""

    def test_total_is_computed(self):
        """Test that a sale without total gets cash + electronic"""
        sale = SaleRecord(sale_id='s1', amount_cash='500', amount_electronic='300')
        assert sale.total == Decimal('800')

    def test_matching_total_is_accepted(self):
        """Test that a consistent total passes"""
        sale = SaleRecord(sale_id='s1', amount_cash=Decimal('521.50'),
                          amount_electronic=Decimal('535.00'), total=Decimal('1056.50'))
        assert sale.total == Decimal('1056.50')

    def test_mismatched_total_is_rejected(self):
        """Test that a bad total is never trusted"""
        with pytest.raises(ValidationError):
            SaleRecord(sale_id='s1', amount_cash='500', amount_electronic='300', total='900')

    def test_float_amounts_keep_their_decimal_value(self):
        """Test that floats are converted through their text form"""
        sale = SaleRecord(sale_id='s1', amount_cash=0.1, amount_electronic=0.2)
        assert sale.total == Decimal('0.3')


class TestNewPurchase:
    """Test cases for purchase construction"""

    def test_snapshot_and_total(self):
        """Test unit cost snapshot and total cost"""
        product = make_product('1', 'GELINHO', '83.40', 240)
        purchase = new_purchase(product, 55, '83.40', purchase_date=date(2025, 1, 7))
        assert purchase.total_cost == Decimal('4587.00')
        assert purchase.unit_cost_snapshot == Decimal('0.347500')
        assert purchase.supplier_name == 'LUIS DOCE'
        assert purchase.event_id is None

    @pytest.mark.parametrize('qty, cost', [(0, '10'), (-1, '10'), (1, '-0.01')])
    def test_rejects_bad_input(self, qty, cost):
        """Test non-positive quantity and negative cost"""
        product = make_product('1', 'GELINHO', '83.40', 240)
        with pytest.raises(ValidationError):
            new_purchase(product, qty, cost)


class TestProductAndUser:
    def test_unit_cost(self):
        product = make_product('2', 'HALLS PRETO', '26.90', 21)
        assert product.unit_cost == Decimal('26.90') / 21

    def test_unit_cost_without_units(self):
        """Test the division guard"""
        assert make_product('x', 'EMPTY', '10', 0).unit_cost == Decimal('0')

    def test_hash_credential(self):
        hashed = hash_credential('secret')
        assert hashed != 'secret'
        assert check_password_hash(hashed, 'secret')

    def test_password_shaped_like_a_hash_is_hashed(self):
        """Test that a plain password starting with a hash method prefix is hashed too"""
        user = new_user('Ann', 'ann', 'scrypt:secret')
        assert user.credential != 'scrypt:secret'
        assert check_password_hash(user.credential, 'scrypt:secret')
        assert hash_credential('pbkdf2:secret') != 'pbkdf2:secret'

    def test_new_user_requires_password(self):
        with pytest.raises(ValidationError):
            new_user('Ann', 'ann', '')

    def test_new_user_role(self):
        user = new_user('Ann', 'ann', 'pw', role=Config.UserRole.ADMIN)
        assert user.is_admin
        assert user.credential != 'pw'
